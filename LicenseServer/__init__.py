"""
License Server Django project.

Issues, binds and validates software licenses for client installations.
"""
