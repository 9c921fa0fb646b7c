import uvicorn

from ipranges.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "ipranges.main:app",
        host=settings.listen_host,
        port=settings.listen_port,
        log_level=settings.log_level,
    )
