"""Roadside assistance backend"""
