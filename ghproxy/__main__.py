import uvicorn

from ghproxy.vars import HOST, LOG_LEVEL, PORT


def main():
    uvicorn.run(
        "ghproxy.server:app",
        host=HOST,
        port=PORT,
        log_level=LOG_LEVEL,
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
