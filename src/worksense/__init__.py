"""WorkSense presence pipeline.

This package is organized by feature modules (broker, events, attendance,
aggregation, payroll, ...) with a thin Flask controller layer on top of the
service/repository layers.
"""
