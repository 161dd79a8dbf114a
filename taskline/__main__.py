"""Run the task service with uvicorn."""

from __future__ import annotations

import logging
import os

import uvicorn

DEFAULT_PROCESS_HOST = "127.0.0.1"
DEFAULT_PROCESS_PORT = "18170"


def main() -> None:
    process_host = os.getenv("PROCESS_HOST", DEFAULT_PROCESS_HOST).strip() or DEFAULT_PROCESS_HOST
    process_port = os.getenv("PROCESS_PORT", DEFAULT_PROCESS_PORT).strip() or DEFAULT_PROCESS_PORT

    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run("taskline.main:app", host=process_host, port=int(process_port))


if __name__ == "__main__":
    main()
