"""Web scraper analytics: an MCP server that loads websites in a
headless browser and reports the HTTP traffic they generate."""
