"""Check cycle schemas."""
from pydantic import BaseModel


class CycleSummary(BaseModel):
    """Outcome of one check cycle, as returned by the cron trigger."""
    message: str
    checked: int
    successful: int = 0
    failed: int = 0
