"""VAPI webhooks and tool-call endpoints"""
