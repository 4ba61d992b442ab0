from pydantic import BaseModel, Field
from typing import List

class ProxyLogEntry(BaseModel):
    id: int
    requested_url: str
    timestamp: str = Field(description="UTC time of the request, ISO 8601")

class LogStats(BaseModel):
    total_entries: int
    today_entries: int = Field(description="Entries logged since midnight UTC")
    database_path: str

class RecentLogs(BaseModel):
    entries: List[ProxyLogEntry]
