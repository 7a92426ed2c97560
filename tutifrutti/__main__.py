from __future__ import annotations

import uvicorn

from tutifrutti.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("tutifrutti.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
