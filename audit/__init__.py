"""
audit — HubSpot data-readiness metrics.

  • probes      — one isolated metric computation each
  • aggregator  — concurrent fan-out over the probe list
  • property_audit / data_health — sampled reports behind /api/audit and /api/data-health
"""
