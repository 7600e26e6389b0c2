"""Type descriptors, typed pointers and the memory codec."""

from .codec import Value as Value
from .codec import check_value as check_value
from .codec import read as read
from .codec import write as write
from .layout import FieldLayout as FieldLayout
from .layout import StructLayout as StructLayout
from .layout import describe_layout as describe_layout
from .memory import BufferMemory as BufferMemory
from .memory import MemoryAccess as MemoryAccess
from .pointer import Address as Address
from .pointer import TypedPointer as TypedPointer
from .types import *
