from .logger_middleware import *
from .request_timer import *
