"""Session and shared-state layer.

The preview session holds everything a user may still change before a
commit; the odometer ledger is the only component allowed to mutate a
vehicle's running ``odometer_km``.
"""
