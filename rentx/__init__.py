"""RentX car-rental marketplace service."""
