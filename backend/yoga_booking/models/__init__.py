from yoga_booking.models.yoga_class import YogaClass
from yoga_booking.models.booking import Booking
from yoga_booking.models.participant_audit import ParticipantCountAudit

__all__ = ["YogaClass", "Booking", "ParticipantCountAudit"]
