from pricelist_intake import cli

cli.app()
