from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    job_id: str | None
    quotation_id: str | None
    is_read: bool
    read_at: str | None
    created_at: str
