from ticketgate.models.event import Event, EventState, event_state
from ticketgate.models.fulfillment import Fulfillment
from ticketgate.models.ticket import Ticket, TICKET_STATUS_PAID
from ticketgate.models.api_log import ApiLog

__all__ = [
    "Event", "EventState", "event_state",
    "Fulfillment",
    "Ticket", "TICKET_STATUS_PAID",
    "ApiLog",
]
