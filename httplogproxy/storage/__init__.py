"""Storage of apps and recorded HTTP logs: SQLite and Elasticsearch backends."""