# Supabase tables: communities, community_members, community_invitations
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

communities:
- id: uuid (primary key)
- name: text (not null)
- subject: text (not null)
- description: text (nullable)
- cover_image_url: text (nullable)
- created_by: uuid (not null, references auth.users.id)
- created_at: timestamp (default: now())
- updated_at: timestamp

community_members:
- id: uuid (primary key)
- community_id: uuid (references communities.id)
- user_id: uuid (references auth.users.id)
- joined_at: timestamp (default: now())
- unique (community_id, user_id)

community_invitations:
- id: uuid (primary key)
- community_id: uuid (references communities.id)
- invited_by: uuid (references auth.users.id)
- invite_code: text (unique) - first block of a uuid4, 8 hex chars
- used_by: uuid (nullable)
- used_at: timestamp (nullable)
- created_at: timestamp (default: now())
"""
