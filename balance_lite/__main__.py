import uvicorn

from balance_lite.vars import HOST, LOG_LEVEL, PORT


def main() -> None:
    uvicorn.run("balance_lite.server:app", host=HOST, port=PORT, log_level=LOG_LEVEL)


if __name__ == "__main__":
    main()
