"""
AI insights over the client base (Gemini).

- Strategic summary of the current client list
- Fictitious sample clients for seeding an empty workspace
"""
