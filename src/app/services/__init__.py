"""Services package - Business logic layer."""
