"""Organizations domain - tenants, members, verification and AI setup"""
