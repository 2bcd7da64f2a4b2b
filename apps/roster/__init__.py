"""
Roster App - Slack workspace to account reconciliation

Keeps accounts in line with the Slack member directory: new members get an
account, profile drift is patched, and departed members without purchase
history are removed.
"""
