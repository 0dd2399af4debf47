"""Bulk upload domain - queued imports of mechanics, service providers and policies"""
