"""Mechanics domain - mechanics and service providers, org links and blacklists"""
