"""Models for the Z.ai / BigModel monitor API payloads."""

from pydantic import BaseModel, ConfigDict, Field

TOKENS_LIMIT_TYPE = "TOKENS_LIMIT"


class QuotaLimit(BaseModel):
    """One limit entry from the quota endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    percentage: int = Field(ge=0, le=100)
    next_reset_time: int | None = Field(default=None, alias="nextResetTime")


class QuotaData(BaseModel):
    """Payload ``data`` section of the quota endpoint."""

    model_config = ConfigDict(extra="ignore")

    limits: list[QuotaLimit] = Field(default_factory=list)

    def select_limit(self) -> QuotaLimit | None:
        """Pick the token limit, falling back to the first entry."""
        for limit in self.limits:
            if limit.type == TOKENS_LIMIT_TYPE:
                return limit
        return self.limits[0] if self.limits else None


class QuotaApiResponse(BaseModel):
    """Envelope returned by the quota endpoint."""

    model_config = ConfigDict(extra="ignore")

    code: int
    data: QuotaData | None = None
