# Supabase tables: user_roles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

user_roles:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, not null)
- role: app_role enum (not null) - values: student, teacher, admin, guest
- created_at: timestamp (default: now())

Rows written before the enum was reconciled may still carry the legacy
value "visitor"; it is read as "guest".
"""
