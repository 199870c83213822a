"""
Listings app - bookable inventory owned by hosts.

Only the parts of a listing the settlement pipeline reads live here: the
category taxonomy, the owning host (``created_by``) and the contact email
used for host notifications.
"""
