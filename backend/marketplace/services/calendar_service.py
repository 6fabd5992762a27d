from datetime import datetime, timedelta
from icalendar import Alarm, Calendar, Event

from marketplace.errors import ValidationError
from marketplace.services.job_machine import ASSIGNED_STATUSES, JobStatus

DEFAULT_VISIT_HOURS = 2


def generate_visit_ics(job, professional_name: str | None = None, client_name: str | None = None) -> bytes:
    """Calendar entry for the visit of an assigned job on its preferred date."""
    if JobStatus(job.status) not in ASSIGNED_STATUSES:
        raise ValidationError("Only assigned jobs can be exported to a calendar", field="status")
    if not job.preferred_date:
        raise ValidationError("Job has no preferred date set", field="preferred_date")

    cal = Calendar()
    cal.add("prodid", "-//LocalServicesMarketplace//EN")
    cal.add("version", "2.0")

    event = Event()
    event.add("uid", f"{job.id}@marketplace")
    event.add("summary", f"{job.job_number}: {job.title}")
    event.add("location", job.work_address)

    day = datetime.strptime(job.preferred_date, "%Y-%m-%d")
    if job.preferred_time:
        hour, minute = (int(part) for part in job.preferred_time.split(":")[:2])
        start = day.replace(hour=hour, minute=minute)
        event.add("dtstart", start)
        event.add("dtend", start + timedelta(hours=DEFAULT_VISIT_HOURS))
    else:
        event.add("dtstart", day.date())
        event.add("dtend", day.date() + timedelta(days=1))

    description_parts = [job.description]
    if client_name:
        description_parts.append(f"Client: {client_name}")
    if professional_name:
        description_parts.append(f"Professional: {professional_name}")
    if job.final_price is not None:
        description_parts.append(f"Agreed price: {job.final_price:.2f} {job.price_currency}")
    event.add("description", "\n".join(description_parts))

    # Reminders: day before and one hour before
    for delta in [timedelta(days=1), timedelta(hours=1)]:
        alarm = Alarm()
        alarm.add("action", "DISPLAY")
        alarm.add("trigger", -delta)
        alarm.add("description", f"Upcoming visit: {job.title}")
        event.add_component(alarm)

    cal.add_component(event)
    return cal.to_ical()
