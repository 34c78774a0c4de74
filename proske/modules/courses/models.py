# Supabase tables: courses, course_modules, course_lessons, lesson_progress, user_course_access
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

courses:
- id: uuid (primary key)
- community_id: uuid (references communities.id)
- name: text (not null)
- description: text (nullable)
- cover_image_url: text (nullable)
- price: numeric (nullable) - null/0 means free
- checkout_url: text (nullable)
- is_visible: boolean (default: true)
- created_by: uuid
- created_at, updated_at: timestamp

course_modules:
- id: uuid (primary key)
- course_id: uuid (references courses.id, on delete cascade)
- name: text, description: text (nullable)
- order_index: int (not null)

course_lessons:
- id: uuid (primary key)
- module_id: uuid (references course_modules.id, on delete cascade)
- name: text, description: text (nullable)
- youtube_url: text (not null)
- duration_minutes: int (nullable)
- order_index: int (not null)

lesson_progress:
- id: uuid (primary key)
- user_id: uuid, lesson_id: uuid
- completed: boolean (default: false)
- completed_at: timestamp (nullable) - null whenever completed is false
- unique (user_id, lesson_id)

user_course_access:
- id: uuid (primary key)
- user_id: uuid, course_id: uuid
- start_date: timestamp, end_date: timestamp (end_date > start_date)
- granted_by: uuid
"""
