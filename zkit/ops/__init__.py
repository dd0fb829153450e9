"""Operational handlers: liveness, readiness, log level and provided snapshots."""