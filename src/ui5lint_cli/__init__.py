"""
ui5lint cli - command line interface, configuration and report formatting
"""
