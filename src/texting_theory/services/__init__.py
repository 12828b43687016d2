"""Domain services: vote storage, eligibility, consensus and display."""
