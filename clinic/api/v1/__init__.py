from .doctor_router import *
from .schedule_router import *
from .booking_router import *
