"""
Ecowitt Prometheus Relay
========================

Receives Ecowitt weather station uploads and republishes every reported
field as a Prometheus gauge.

HOW IT'S ORGANIZED:
------------------
- models/    = Data structures (what does a report look like?)
- services/  = Workers (parse reports, hold metrics, watchdog)
- routers/   = API endpoints (the doors into our app)
- main.py    = Puts it all together
- cli.py     = Command line entry point
"""

__version__ = "1.0.0"
