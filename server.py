#!/usr/bin/env python3
"""
Local entrypoint. Configuration is read from the environment / `.env`.
Use `python3 server.py` or `uvicorn storefront_app.main:app`.
"""

from storefront_app.main import run


if __name__ == "__main__":
    run()
