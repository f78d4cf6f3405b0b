"""Django apps of the RentZone backend."""
