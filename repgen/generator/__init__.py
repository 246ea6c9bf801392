"""Remote object interface compiler."""

from .enums import EnumPlan as EnumPlan
from .enums import WireType as WireType
from .enums import plan_enum as plan_enum
from .loader import ValidationError as ValidationError
from .loader import load as load
from .loader import load_file as load_file
from .loader import validate as validate
from .ordinals import OrdinalTables as OrdinalTables
from .ordinals import assign_ordinals as assign_ordinals
from .types import *
