"""User domain - account lookups guarded by role-based access"""
