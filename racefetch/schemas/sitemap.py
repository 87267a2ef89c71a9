from pydantic import BaseModel


class StrategyReason(BaseModel):
    strategy: str
    reason: str


class RaceFailureResponse(BaseModel):
    success: bool = False
    cause: str
    message: str
    reasons: list[StrategyReason]


class SitemapResult(BaseModel):
    success: bool = True
    url: str
    winner: str
    elapsed: float
    text: str
