"""VAPI assistant call settings domain"""
