"""
Service modules for HAL
"""
