# Supabase tables: messages, message_reads
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

messages:
- id: uuid (primary key)
- community_id: uuid (references communities.id) - copied from the group
- group_id: uuid (references conversation_groups.id)
- user_id: uuid (author, references auth.users.id)
- content: text (not null)
- message_type: text (nullable) - plain | task_submission | task_assigned | task_reviewed
- metadata: jsonb (nullable) - payload fields of the message_type, without "type"
- created_at: timestamp (default: now())
- updated_at: timestamp

message_reads:
- id: uuid (primary key)
- group_id: uuid
- message_id: uuid (references messages.id)
- user_id: uuid
- read_at: timestamp (default: now())
- unique (message_id, user_id)

Realtime: the messages table is part of the supabase_realtime publication so
INSERT events can be streamed per group (filter group_id=eq.<id>).
"""
