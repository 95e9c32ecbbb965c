"""HTTP clients for the serial verification and registration backends."""
