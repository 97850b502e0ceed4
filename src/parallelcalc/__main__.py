import sys

from parallelcalc.cli import main

sys.exit(main())
