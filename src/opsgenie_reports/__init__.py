"""On-call, payment, toil and alert statistics reports from Opsgenie."""

__version__ = "0.1.0"
