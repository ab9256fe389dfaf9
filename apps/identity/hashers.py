from django.contrib.auth.hashers import BCryptPasswordHasher


class BCryptCost10PasswordHasher(BCryptPasswordHasher):
    """bcrypt with cost factor 10, the work factor existing account hashes use."""
    algorithm = "bcrypt"
    rounds = 10
