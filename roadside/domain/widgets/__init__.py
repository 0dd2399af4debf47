"""Organization widget domain"""
