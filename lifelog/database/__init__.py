"""
Event store SQL: statement templates (``sqlcmd``) and DDL (``schema``).
"""
