"""Knowledge-base items domain"""
