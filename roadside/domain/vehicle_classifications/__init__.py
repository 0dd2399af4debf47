"""Vehicle classification (towing rate) domain"""
