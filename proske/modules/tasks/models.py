# Supabase tables: submissions, assigned_tasks, assigned_task_students
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

submissions:
- id: uuid (primary key)
- community_id: uuid (references communities.id)
- student_id: uuid (references auth.users.id)
- video_url: text (not null) - YouTube link
- recording_date: date (not null)
- task_name: text (not null)
- song_name, harmonic_field, effective_key, melodic_reference, extra_notes: text (nullable)
- bpm: int (nullable)
- status: text (default: 'pending') - pending | reviewed
- grade: int (nullable) - 0..100
- grade_mao_direita, grade_mao_esquerda, grade_voz, grade_video,
  grade_interpretacao, grade_audio: int (nullable) - 1..5
- obs_mao_direita, obs_mao_esquerda, obs_voz, obs_video,
  obs_interpretacao, obs_audio: text (nullable)
- teacher_comments: text (nullable)
- reviewed_by: uuid (nullable), reviewed_at: timestamp (nullable)
- created_at, updated_at: timestamp

Check constraint expected: status = 'reviewed' <=> reviewed_by and reviewed_at are not null.

assigned_tasks:
- id: uuid (primary key)
- community_id: uuid, created_by: uuid
- title: text, description: text
- youtube_url, pdf_url: text (nullable)
- deadline: timestamp (nullable)
- created_at: timestamp

assigned_task_students:
- id: uuid (primary key)
- assigned_task_id: uuid (references assigned_tasks.id, on delete cascade)
- student_id: uuid
- status: text (default: 'pending') - pending | completed
- created_at: timestamp
- unique (assigned_task_id, student_id)
"""
