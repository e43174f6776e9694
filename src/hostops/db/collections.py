"""Collection names used in the operational document store."""

JOBS = "jobs"
BOOKINGS = "bookings"
STAFF = "staff"
NOTIFICATIONS = "notifications"
CALENDAR_EVENTS = "calendar_events"
AUDIT_LOG = "audit_log"
AI_USAGE_LOGS = "ai_usage_logs"
