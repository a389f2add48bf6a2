"""Persisting and reversing GPS mileage: audit rows plus odometer deltas."""
