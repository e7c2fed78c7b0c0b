"""
expenso
~~~~~~~

Backend for the Expenso personal finance tracker. Transactions live in
DynamoDB; budget pacing, advice and forecasts are produced by the
AdvisoryService, which falls back to local analytics when the hosted model
is unavailable.
"""
