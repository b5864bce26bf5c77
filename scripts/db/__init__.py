from .data_template import *
from .seed_db import *
