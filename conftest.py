# Ensure tests import the ghproxy package from this checkout first,
# also when it has not been installed into the environment.
import os
import sys

SERVICE_ROOT = os.path.dirname(__file__)

if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)
