"""`python -m webui_proxy` runs the proxy with uvicorn on HOST:PORT."""

import uvicorn

from webui_proxy.core.config import settings


def main() -> None:
    uvicorn.run(
        "webui_proxy.main:app",
        host=settings.HOST,
        port=settings.PORT,
        access_log=settings.ACCESS_LOG,
        log_config=None,
    )


if __name__ == "__main__":
    main()
