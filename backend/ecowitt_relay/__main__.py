import sys

from ecowitt_relay.cli import main

sys.exit(main())
