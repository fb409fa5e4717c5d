"""pricelist-intake — Turn spreadsheet price lists into validated price items."""

__version__ = "0.1.0"
