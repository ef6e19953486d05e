"""DC/OS Metrics Client.

Client for the DC/OS cluster REST API that logs in with a service account
and fetches the cluster summary and per-node and per-container metrics.
"""

__version__ = "0.1.0"
