"""Tests for specifier to file resolution."""
from dynref.analyzer.module_resolver import resolve_module_path


class TestDirectoryResolution:

    def test_directory_lists_source_files_only(self, write_tree):
        root = write_tree({
            'components/Button/Button.tsx': 'export default 1;',
            'components/Button/README.md': '# Button',
            'pages/index.tsx': '',
        })
        result = resolve_module_path('../components/Button', root / 'pages' / 'index.tsx')
        assert result == [str(root / 'components' / 'Button' / 'Button.tsx')]

    def test_directory_entries_sorted(self, write_tree):
        root = write_tree({
            'lib/zeta.ts': '',
            'lib/alpha.jsx': '',
            'lib/index.mjs': '',
            'main.ts': '',
        })
        result = resolve_module_path('./lib', root / 'main.ts')
        assert result == [
            str(root / 'lib' / 'alpha.jsx'),
            str(root / 'lib' / 'index.mjs'),
            str(root / 'lib' / 'zeta.ts'),
        ]

    def test_subdirectories_with_source_suffix_skipped(self, write_tree):
        root = write_tree({'lib/nested.ts/inner.ts': '', 'main.ts': ''})
        assert resolve_module_path('./lib', root / 'main.ts') == []

    def test_empty_directory(self, tmp_path):
        (tmp_path / 'empty').mkdir()
        assert resolve_module_path('./empty', tmp_path / 'main.ts') == []


class TestFileResolution:

    def test_probe_order_prefers_tsx(self, write_tree):
        root = write_tree({'Home.ts': '', 'Home.tsx': '', 'Home.js': '', 'page.tsx': ''})
        assert resolve_module_path('./Home', root / 'page.tsx') == [str(root / 'Home.tsx')]

    def test_probe_falls_through_extensions(self, write_tree):
        root = write_tree({'legacy.js': '', 'page.tsx': ''})
        assert resolve_module_path('./legacy', root / 'page.tsx') == [str(root / 'legacy.js')]

    def test_specifier_with_extension(self, write_tree):
        root = write_tree({'Home.tsx': '', 'page.tsx': ''})
        assert resolve_module_path('./Home.tsx', root / 'page.tsx') == [str(root / 'Home.tsx')]

    def test_absolute_specifier(self, write_tree):
        root = write_tree({'src/Button.tsx': ''})
        specifier = str(root / 'src' / 'Button')
        assert resolve_module_path(specifier, '/anywhere/page.tsx') == [str(root / 'src' / 'Button.tsx')]


class TestUnresolved:

    def test_missing_module_returns_empty(self, tmp_path):
        assert resolve_module_path('./Missing', tmp_path / 'page.tsx') == []

    def test_missing_importing_directory_never_raises(self):
        assert resolve_module_path('./x', '/definitely/not/here/page.tsx') == []

    def test_non_source_file_not_returned(self, write_tree):
        root = write_tree({'styles.css': '', 'page.tsx': ''})
        assert resolve_module_path('./styles.css', root / 'page.tsx') == []
