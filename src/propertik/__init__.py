"""propertik - Typed, validated, lazily evaluated properties for configuration resources."""

from .catalog import Catalog as Catalog
from .errors import ValidationFailed as ValidationFailed
from .lazy import DeferredValue as DeferredValue
from .lazy import lazy as lazy
from .nodes import Node as Node
from .nodes import NodeMap as NodeMap
from .options import PropertyOptions as PropertyOptions
from .priority import ResourcePriorityMap as ResourcePriorityMap
from .properties import NOT_PASSED as NOT_PASSED
from .properties import Property as Property
from .resources import Resource as Resource
from .resources import resource as resource
from .storage import AttributeStorage as AttributeStorage
