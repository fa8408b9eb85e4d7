"""Google API access — profile and Google Tasks."""
