"""Consultation booking API"""
