
from riskshield.schemas.common import CamelModel

class AbnLookupOut(CamelModel):
    valid: bool
    abn: str
    entity_name: str | None = None
    status: str
    entity_type: str | None = None
    message: str | None = None
    source: str
