from uuid import UUID

from steward.schemas.common import ApiModel, UtcDatetime


class PledgeChargeResponse(ApiModel):
    id: UUID
    pledge_id: UUID
    amount_cents: int
    currency: str
    status: str
    kind: str
    transaction_id: str | None = None
    failure_reason: str | None = None
    charged_at: UtcDatetime | None = None
    failed_at: UtcDatetime | None = None
    created_at: UtcDatetime
