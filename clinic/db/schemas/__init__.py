from .doctor_schema import *
from .schedule_schemas import *
from .booking_schemas import *
