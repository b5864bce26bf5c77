from .get_date_range import *
from .get_project_root import *
