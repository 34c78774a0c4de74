# Supabase table: interview_schedules
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

interview_schedules:
- id: uuid (primary key)
- user_id: uuid (references auth.users.id)
- scheduled_date: date (not null)
- scheduled_time: text (not null) - HH:mm
- status: text (default: 'pending') - pending | confirmed | cancelled
- confirmed_by: uuid (nullable)
- created_at, updated_at: timestamp
"""
