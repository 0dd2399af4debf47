"""Web chat threads with mechanic and organization AI assistants"""
