"""Tickets domain - roadside service jobs, mechanic offers and submission terms"""
