# Supabase table: schemes
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

schemes:
- id: uuid (primary key)
- name: text (not null, unique) - generated id unless supplied
- display_name: text (not null)
- description: text (not null, default '')
- scope: text (not null) - "team" or "channel"
- default_team_admin_role: text (not null, default '') - roles.name
- default_team_user_role: text (not null, default '') - roles.name
- default_team_guest_role: text (not null, default '') - roles.name
- default_channel_admin_role: text (not null, default '') - roles.name
- default_channel_user_role: text (not null, default '') - roles.name
- default_channel_guest_role: text (not null, default '') - roles.name
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Role fields hold role names, not foreign keys. Team role fields are empty for
channel-scoped schemes.
"""
