"""Feed resolution, RSS fetching and article scraping."""
