# Supabase tables: conversation_groups, group_members, user_menu_order
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

conversation_groups:
- id: uuid (primary key)
- community_id: uuid (references communities.id, not null)
- name: text (not null)
- description: text (nullable)
- is_visible: boolean (default: true) - shown in the students' sidebar
- students_can_message: boolean (default: true)
- allowed_message_roles: app_role[] (nullable) - empty/null means any member may post
- created_by: uuid (not null)
- created_at: timestamp (default: now())
- updated_at: timestamp

group_members:
- id: uuid (primary key)
- group_id: uuid (references conversation_groups.id, not null)
- user_id: uuid (references auth.users.id, not null)
- joined_at: timestamp (default: now())
- unique constraint on (group_id, user_id)

user_menu_order:
- id: uuid (primary key)
- user_id: uuid
- item_type: text - "group"
- item_id: uuid
- order_index: int
- unique constraint on (user_id, item_type, item_id)
"""
