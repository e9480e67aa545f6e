# Supabase table: roles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

roles:
- id: uuid (primary key)
- name: text (not null, unique) - e.g., "system_admin", or a generated id for scheme roles
- display_name: text (not null)
- description: text (nullable)
- permissions: text[] (not null, default '{}') - e.g., {"create_post", "read_channel"}
- scheme_managed: boolean (default: false) - created on behalf of a scheme
- built_in: boolean (default: false) - one of the well-known system/team/channel roles
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
"""
