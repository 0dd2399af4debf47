"""Policies domain - insurance policies and policy validation"""
