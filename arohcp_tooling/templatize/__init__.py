"""Azure resource naming, a text-template engine and JSON/YAML pretty-printing."""