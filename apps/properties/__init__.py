"""Properties app package.

Property listings with their rental terms (monthly rent, deposit and
long-stay discount) and the read-only availability calendar.
"""
