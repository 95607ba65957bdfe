from dataclasses import dataclass


@dataclass(frozen=True)
class Persona:
    id: str
    name: str
    display_name: str
    description: str                   # voice descriptor
    style: str                         # dramatic | analytical | enthusiastic | poetic
    system_prompt: str
    style_rules: tuple[str, ...] = ()
    temperature: float = 0.8           # 0.0-1.0
    max_output_chars: int = 280
    partition: str = ""                # corpus partition key; defaults to id

    @property
    def corpus_partition(self) -> str:
        return self.partition or self.id
