import os
from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class OutboundHeaders:
    """Fixed header set sent with every outbound GET."""
    user_agent: str
    accept: str
    accept_charset: str = "UTF-8"
    cookie: str = ""

    def as_dict(self) -> Dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": self.accept,
            "Accept-Charset": self.accept_charset,
        }
        if self.cookie:
            headers["Cookie"] = self.cookie
        return headers


class Settings:
    # Request log storage
    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "data/proxy_logs.sqlite")
    PROXY_LOG_ENABLED: bool = os.getenv("PROXY_LOG_ENABLED", "1").lower() in ("1", "true", "yes")

    # Fetching
    MAX_REDIRECTS: int = int(os.getenv("MAX_REDIRECTS", "5"))
    REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "30"))
    CONNECT_TIMEOUT: float = float(os.getenv("CONNECT_TIMEOUT", "10"))
    USER_AGENT: str = os.getenv(
        "USER_AGENT",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    )
    ACCEPT: str = os.getenv(
        "ACCEPT",
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
        "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7",
    )
    PROXY_COOKIE: str = os.getenv(
        "PROXY_COOKIE",
        "_ga=GA1.1.1411928985.1723788857; _gid=GA1.1.668514027.1723788857; "
        "_ga_ZY32DVFY15=GS1.1.1723788857.1.0.1723788883.0.0.0",
    )

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_JSON: bool = os.getenv("LOG_JSON", "0").lower() in ("1", "true", "yes")

    def outbound_headers(self) -> OutboundHeaders:
        return OutboundHeaders(
            user_agent=self.USER_AGENT,
            accept=self.ACCEPT,
            accept_charset="UTF-8",
            cookie=self.PROXY_COOKIE,
        )

settings = Settings()
