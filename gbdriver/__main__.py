"""Allow ``python -m gbdriver``."""

import sys

from gbdriver.main import main

sys.exit(main())
