import sys

from cronproc.cli import main

sys.exit(main())
