from pydantic import BaseModel


class PaymentResponse(BaseModel):
    id: str
    payment_number: str
    job_id: str
    client_id: str
    professional_id: str
    total_amount: float
    professional_amount: float
    platform_fee: float
    currency: str
    status: str
    payment_method: str
    release_after: str | None
    released_at: str | None
    created_at: str
