# Supabase tables: tags, crm_leads, lead_tags, user_tags, crm_notes
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

tags:
- id: uuid (primary key)
- name: text (not null)
- color: text (not null) - #RRGGBB
- order_index: int (not null)
- created_by: uuid
- created_at: timestamp

crm_leads:
- id: uuid (primary key)
- name: text (not null)
- email, phone, city, avatar_url: text (nullable)
- created_by: uuid
- created_at: timestamp

lead_tags:
- id: uuid (primary key)
- lead_id: uuid (references crm_leads.id, on delete cascade)
- tag_id: uuid (references tags.id, on delete cascade)
- unique (lead_id, tag_id)

user_tags:
- id: uuid (primary key)
- user_id: uuid (references auth.users.id, on delete cascade)
- tag_id: uuid (references tags.id, on delete cascade)
- unique (user_id, tag_id)

crm_notes:
- id: uuid (primary key)
- lead_id: uuid (nullable), user_id: uuid (nullable) - exactly one is set
- note: text (not null)
- created_by: uuid
- created_at: timestamp
"""
