"""Import alias table: expansion of aliased specifiers and normalization of rewritten imports."""

import posixpath

# prefix → project directory, as configured in the project's jsconfig/tsconfig
DEFAULT_ALIASES: dict[str, str] = {
    "@types/": "src/types/",
    "@components/": "components/",
    "@src-components/": "src/components/",
    "@hooks/": "src/hooks/",
    "@lib/": "lib/",
    "@src-lib/": "src/lib/",
    "@app/": "src/app/",
    "@src-types/": "src/types/",
    "@public/": "public/",
    "@/": "src/",
}


class AliasTable:
    def __init__(self, mapping: dict[str, str]) -> None:
        entries = [(prefix, directory.strip("/")) for prefix, directory in mapping.items()]
        # longest prefix wins when expanding; most specific directory first when rewriting
        self._by_prefix = sorted(entries, key=lambda e: len(e[0]), reverse=True)
        self._by_directory = sorted(entries, key=lambda e: len(e[1]), reverse=True)

    @property
    def prefixes(self) -> list[str]:
        return [prefix for prefix, _ in self._by_prefix]

    def is_internal(self, specifier: str) -> bool:
        if specifier.startswith((".", "/")):
            return True
        return any(specifier.startswith(prefix) for prefix, _ in self._by_prefix)

    def expand(self, specifier: str, importer: str) -> str | None:
        """
        Turn a specifier into a project-relative path (no extension probing).

        Returns None for external packages and for paths escaping the root.
        """
        if specifier.startswith("."):
            joined = posixpath.join(posixpath.dirname(importer), specifier)
        elif specifier.startswith("/"):
            joined = specifier.lstrip("/")
        else:
            for prefix, directory in self._by_prefix:
                if specifier.startswith(prefix):
                    joined = posixpath.join(directory, specifier[len(prefix):])
                    break
            else:
                return None
        path = posixpath.normpath(joined)
        if path == ".." or path.startswith("../"):
            return None
        return path

    @staticmethod
    def relative(target: str, writer: str) -> str:
        rel = posixpath.relpath(target, posixpath.dirname(writer) or ".")
        if rel == ".." or rel.startswith("../"):
            return rel
        return "./" + rel

    def aliased_forms(self, target: str, writer: str) -> list[str]:
        forms: list[str] = []
        for prefix, directory in self._by_directory:
            if not directory:
                rest = target
            elif target.startswith(directory + "/"):
                rest = target[len(directory) + 1:]
            else:
                continue
            form = prefix + rest
            # skip forms a longer prefix would expand differently
            if self.expand(form, writer) == target:
                forms.append(form)
        return forms

    def normalize(self, specifier: str, importer: str, writer: str) -> str:
        """
        Rewrite an internal specifier for a file written at ``writer``.

        Picks the shortest of the relative form and every applicable alias
        form; ties go to the alias, most specific directory first.
        """
        target = self.expand(specifier, importer)
        if target is None:
            return specifier
        relative = self.relative(target, writer)
        forms = self.aliased_forms(target, writer)
        if forms:
            best = min(forms, key=len)
            if len(best) <= len(relative):
                return best
        return relative
