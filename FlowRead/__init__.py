"""
`FlowRead`: Reading of Flow Cytometry Standard (FCS 3.0/3.1) files.

"""

# Versions should comply with PEP440.  For a discussion on single-sourcing
# the version across setup.py and the project code, see
# https://packaging.python.org/en/latest/single_source_version.html
__version__ = '0.1.0'

from . import exceptions
from . import keywords
from . import metadata
from . import io
from . import transform
