# Supabase tables: payments, student_ltv_analysis (view)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

payments:
- id: uuid (primary key)
- user_id: uuid (references auth.users.id)
- amount: numeric (not null, > 0)
- amount_paid: numeric (nullable)
- fees: numeric (nullable)
- due_date: date (not null)
- status: payment_status (default: 'pending') - pending | confirmed | overdue | cancelled
- paid_at: timestamp (nullable)
- description: text (nullable)
- plan_id: uuid (nullable, references subscription_plans.id)
- community_id: uuid (nullable, references communities.id)
- created_by: uuid (not null)
- created_at, updated_at: timestamp

student_ltv_analysis (read-only view, one row per student):
- user_id, student_name, email, phone, city, user_role
- current_plan_name, current_plan_price
- subscription_start_date, subscription_end_date, subscription_status
- total_paid, total_pending, months_active, projected_12m_revenue
- days_to_next_payment, ltv, customer_since
"""
