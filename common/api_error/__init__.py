from .ApiError import *
