"""SMS campaigns, their leads and the timed follow-up sender"""
