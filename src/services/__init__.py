# Services Package - model client and session orchestration
