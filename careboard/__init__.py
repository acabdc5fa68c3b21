"""
Clinic treatment board backend
"""
