"""Service pricing domain - priced roadside services and quote calculation"""
