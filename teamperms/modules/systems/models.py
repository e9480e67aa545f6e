# Supabase table: systems
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

systems:
- name: text (primary key) - e.g., "emoji_permissions_split"
- value: text (not null) - "true" once a migration has completed
- updated_at: timestamp (default: now())
"""
