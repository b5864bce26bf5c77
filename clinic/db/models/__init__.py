from .db_base_model import *
from .doctor_table import *
from .schedule_tables import *
from .booking_table import *
