# src/heyzo/api/__main__.py
from __future__ import annotations

import uvicorn

from heyzo.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so HEYZO_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (prevents "config read before env" surprises)
    from heyzo.api.app import create_app
    from heyzo.runtime.engine_config import load_engine_config

    cfg = load_engine_config()
    uvicorn.run(create_app(), host=cfg.api_host, port=int(cfg.api_port), log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
