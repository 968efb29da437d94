import sys

from buckreg.cli import main

sys.exit(main())
