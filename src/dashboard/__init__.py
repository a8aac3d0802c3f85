"""Shop admin dashboard: product image pipeline and catalog form helpers.

The package keeps the admin-side coordination logic (image selection, crop
queue, uploads, slot reconciliation) thin and independent from the REST
backend, which is reached only through injected storage drivers.
"""
