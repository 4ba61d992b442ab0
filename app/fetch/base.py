from dataclasses import dataclass, field
from typing import Dict, List, Optional

DEFAULT_MAX_HOPS = 5

@dataclass(frozen=True)
class FetchRequest:
    target_url: str
    remaining_hops: int

    def next_hop(self, location: str) -> "FetchRequest":
        return FetchRequest(target_url=location, remaining_hops=self.remaining_hops - 1)

@dataclass
class FetchResult:
    url: str  # final, post-redirect URL
    status_code: int
    headers: Dict[str, List[str]] = field(default_factory=dict)
    body: bytes = b""

    def header(self, name: str) -> Optional[str]:
        values = self.headers.get(name.lower())
        return values[0] if values else None

    @property
    def content_type(self) -> Optional[str]:
        return self.header("content-type")

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

class BaseFetcher:
    async def fetch(self, url: str, max_hops: int = DEFAULT_MAX_HOPS) -> FetchResult:
        raise NotImplementedError
