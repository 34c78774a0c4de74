# Supabase table: notifications
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

notifications:
- id: uuid (primary key)
- user_id: uuid (references auth.users.id)
- type: text (not null) - e.g. task_reviewed, task_assigned
- title: text (not null)
- message: text (not null) - short banner text
- description: text (not null)
- action: text (nullable) - client path to open
- related_id: uuid (nullable)
- is_read: boolean (default: false)
- created_at: timestamp
"""
