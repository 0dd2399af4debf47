"""Outbound integrations with third-party HTTP APIs"""
