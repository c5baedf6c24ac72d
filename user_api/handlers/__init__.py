"""API Gateway request handlers.

Lambda entry points:
- ``user_api.handlers.get_user.get_user_handler``
- ``user_api.handlers.get_all_users.get_all_users_handler``
"""
