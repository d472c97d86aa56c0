"""Human (rich) and JSON rendering of service results."""
