# ==============================================
# SOURCE (Remote user directory)
# ==============================================
#
# This package talks to the external directory that hands out
# users page by page.
#
# Modules:
# --------
# - randomuser_client.py → Seeded, paginated HTTP client
#
# ==============================================

from .randomuser_client import RandomUserClient

__all__ = ["RandomUserClient"]
