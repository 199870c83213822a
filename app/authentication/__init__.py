"""
Authentication application.

Email-based custom User for guests, hosts, referrers and admins. Login is
JWT (djangorestframework-simplejwt); registration flows live in the client
and are out of scope here.

Usage:
    from authentication.models import User

    host = User.objects.create_user(email="host@example.com", password="...")
    host.referral_code  # "host", or "host-3f9a" when taken
"""
