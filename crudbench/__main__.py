import sys

from crudbench.cli.main import main

sys.exit(main())
