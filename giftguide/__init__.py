"""
Gift guide generation: company identity in, branded PDF out.

Modules:
- core: pipeline orchestration and the generation outcome
- validation: request checks
- assets: logo probing and attachment naming
- colors / sampler / palette: brand colour extraction
- template: HTML composition for the guide and its email
- render: HTML to PDF renderers
- messaging: email delivery
- api: HTTP transport
"""
