"""Status vocabularies shared by the scheduling models."""

BOOKED = 'booked'
CHECKED_IN = 'checked_in'
IN_PROGRESS = 'in_progress'
COMPLETED = 'completed'
NO_SHOW = 'no_show'
CANCELLED = 'cancelled'

APPOINTMENT_STATUSES = (BOOKED, CHECKED_IN, IN_PROGRESS, COMPLETED, NO_SHOW, CANCELLED)

# Appointments in these states hold their slot and block the patient's day.
LIVE_APPOINTMENT_STATUSES = (BOOKED, CHECKED_IN, IN_PROGRESS)

APPOINTMENT_TRANSITIONS = {
    BOOKED: frozenset({CHECKED_IN, CANCELLED, NO_SHOW}),
    CHECKED_IN: frozenset({IN_PROGRESS, CANCELLED, NO_SHOW}),
    IN_PROGRESS: frozenset({COMPLETED, CANCELLED, NO_SHOW}),
    COMPLETED: frozenset(),
    NO_SHOW: frozenset(),
    CANCELLED: frozenset(),
}

FOLLOWUP_WAITING = 'waiting'
FOLLOWUP_SCHEDULED = 'scheduled'
FOLLOWUP_COMPLETED = 'completed'
FOLLOWUP_CANCELLED = 'cancelled'

FOLLOWUP_STATUSES = (FOLLOWUP_WAITING, FOLLOWUP_SCHEDULED, FOLLOWUP_COMPLETED, FOLLOWUP_CANCELLED)

LIVE_STATUS_SQL = 'status IN ({})'.format(', '.join(f"'{status}'" for status in LIVE_APPOINTMENT_STATUSES))
