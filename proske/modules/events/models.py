# Supabase tables: events, event_groups, event_participants
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

events:
- id: uuid (primary key)
- community_id: uuid (references communities.id)
- title: text (not null)
- description: text (nullable)
- event_date: timestamptz (not null)
- duration_minutes: int (not null)
- event_type: event_type enum - interview | mentoring | group_study | live | individual_study
- social_media_link: text (nullable) - live events
- created_by: uuid (not null)
- study_status: text (nullable) - pending | completed | rescheduled (individual_study only)
- study_topic: text (nullable)
- actual_start_time, actual_end_time: timestamptz (nullable)
- actual_study_notes: text (nullable)
- google_calendar_event_id: text (nullable)
- created_at, updated_at: timestamp

event_groups:
- id: uuid (primary key)
- event_id: uuid (references events.id, on delete cascade)
- group_id: uuid (references conversation_groups.id)
- unique (event_id, group_id)

event_participants:
- id: uuid (primary key)
- event_id: uuid (references events.id, on delete cascade)
- user_id: uuid
- status: text - pending | accepted | declined
- google_calendar_invited: boolean (default: false)
- unique (event_id, user_id)

Rows with event_type = individual_study never have event_groups or
event_participants rows; the study columns are null for every other type.
"""
