import json

from address_match.grammar import AddressParser
from address_match.utils import EnhancedJSONEncoder


if __name__ == "__main__":
    parser = AddressParser()
    raw_addresses = [
        "123 N Main St Apt 4",
        "123 1/2 E Oak Ave, Grants Pass, OR 97526",
        "456 North St #12",
        "789 NE NE Cedar Ln",
        "42",
        "###@@@",
    ]

    for raw in raw_addresses:
        parsed = parser.parse_text(raw)
        print(f"Raw: {raw}")
        print(json.dumps(parsed, cls=EnhancedJSONEncoder, ensure_ascii=False, indent=2))
        print("-" * 40)
