# Supabase table: profiles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, references auth.users.id)
- name: text (not null)
- email: text (nullable)
- phone: text (nullable) - stored as "(11) 99999-9999"
- city: text (nullable)
- bio: text (nullable)
- avatar_url: text (nullable) - public URL in the media bucket
- study_goals: text[] (nullable)
- study_days: int[] (nullable) - 0 = Sunday
- study_schedule: jsonb (nullable) - [{"dayOfWeek": 0-6, "time": "HH:mm", "topic": "..."}]
- monitoring_frequency: text (nullable)
- monitoring_day_of_week: int (nullable)
- monitoring_time: text (nullable)
- weekly_submissions_limit: int (nullable)
- last_active_at: timestamp (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp

Note: passwords and tokens live in auth.users, managed by Supabase Auth.
"""
