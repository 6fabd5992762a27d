from marketplace.models.user import User
from marketplace.models.catalog import ServiceCategory, Service
from marketplace.models.professional import ProfessionalProfile, ProfessionalService, PortfolioItem
from marketplace.models.job import Job, JobStatusChange
from marketplace.models.quotation import Quotation
from marketplace.models.payment import Payment
from marketplace.models.review import Review
from marketplace.models.notification import Notification

__all__ = [
    "User", "ServiceCategory", "Service", "ProfessionalProfile", "ProfessionalService",
    "PortfolioItem", "Job", "JobStatusChange", "Quotation", "Payment", "Review", "Notification",
]
