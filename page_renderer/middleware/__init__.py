"""Request handling around page handlers: dispatch, response capture and error pages."""
