import sys

from mantis.cli import main

sys.exit(main())
