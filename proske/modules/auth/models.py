# Supabase Auth
# This module uses Supabase's built-in authentication system
# Supabase Auth handles:
# - User registration (auth.users table)
# - User login, refresh and session management
# - JWT token generation and validation

"""
Supabase Auth provides:
- auth.sign_up() - Register new users
- auth.sign_in_with_password() - Authenticate users
- auth.refresh_session() - Exchange a refresh token for a new session
- auth.get_user() - Get current user from JWT token
- auth.sign_out() - Logout users

On registration the service also writes:
- profiles row (id = auth user id, name, email)
- user_roles row with the default "student" role
"""
