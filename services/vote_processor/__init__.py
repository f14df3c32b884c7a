"""Vote processor: validate published votes against the election service and store them."""
