"""
rpmgate - HTTP upload and metadata-refresh gateway for RPM repositories.
"""
