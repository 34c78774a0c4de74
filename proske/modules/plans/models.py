# Supabase tables: subscription_plans, plan_default_groups, user_subscriptions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

subscription_plans:
- id: uuid (primary key)
- name: text (not null)
- description: text (nullable)
- price: numeric (not null)
- billing_frequency: text (nullable) - monthly | quarterly | semiannual | yearly
- monitoring_frequency: text (nullable) - weekly | biweekly | monthly
- weekly_corrections_limit, monthly_corrections_limit, monthly_monitorings_limit: int (nullable)
- checkout_url: text (nullable)
- created_at, updated_at: timestamp

plan_default_groups:
- id: uuid (primary key)
- plan_id: uuid (references subscription_plans.id, on delete cascade)
- group_id: uuid (references conversation_groups.id, on delete cascade)
- unique (plan_id, group_id)

user_subscriptions:
- id: uuid (primary key)
- user_id: uuid (references auth.users.id)
- plan_id: uuid (references subscription_plans.id)
- status: text (default: 'active') - active | cancelled | expired
- start_date, end_date: date
- custom_price: numeric (nullable)
- due_day: int (nullable) - 1..31
- created_at, updated_at: timestamp

Required partial unique index (one active subscription per user):
    create unique index user_subscriptions_one_active
        on user_subscriptions (user_id) where status = 'active';
"""
