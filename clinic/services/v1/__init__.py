from .schedule_service import *
from .availability_service import *
from .booking_service import *
from .slot_allocator import *
from .lifecycle_service import *
from .doctor_service import *
