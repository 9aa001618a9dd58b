"""jjtui: an interactive dashboard for the jj version control system."""

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())
