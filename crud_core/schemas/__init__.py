"""
CRUD core schema definitions

Any schema has a base name and any of the following extended names:
 * ``Creation`` to create a new instance of that schema
 * ``Update`` to replace an existing instance of that schema
For example, there are three classes to represent roles:
``Role``, ``RoleCreation`` and ``RoleUpdate``

Updates of versioned models (people and roles) may carry the
``row_version`` the client has seen last. The update will be
rejected if another client modified the model in the meantime.

This package also contains the ``config`` module, but it's not
exported by default, since it's currently only used internally.
"""

from .auth import *
from .building import *
from .errors import *
from .events import *
from .extra import *
from .people import *
