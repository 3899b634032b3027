"""Fixed page shell of the generated TOC document.

The markup, class names and script hooks are what the WebHelp viewer expects; `$title` is the
only substitution.
"""

from __future__ import annotations

from string import Template

TOC_HEAD = Template(
    """<!DOCTYPE html>
<html>
<head>
  <title>$title</title>
  <meta http-equiv="Content-Type" content="text/html; charset=UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1">

  <link type="text/css" href="default.css" rel="stylesheet" />
  <link type="text/css" href="scrollbars.css" rel="stylesheet" />

  <style type="text/css">
    body {
      font-size: 13px;
      font-family: 'Segoe UI', '-apple-system', BlinkMacSystemFont, Roboto, 'Helvetica Neue', Helvetica, Ubuntu, Arial, sans-serif;
      margin: 0;
      padding: 8px 0 8px 12px;
      color: #002669;
    }
    .heading1, .heading2, .heading3,
    .heading4, .heading5, .heading6 { color: #002669; text-decoration: none; }
    .hilight1, .hilight2, .hilight3,
    .hilight4, .hilight5, .hilight6 { color: #002669; background: #e0f0fc; text-decoration: none; }

    #toc, #toc ul { list-style: none; margin: 0; padding: 0; }
    #toc li { margin: 0; padding: 0; }

    #toc a {
      display: block;
      padding: 4px 8px 4px 4px;
      border-radius: 6px;
      color: #002669;
      text-decoration: none;
      line-height: 1.4;
      transition: background 0.15s ease;
    }
    #toc a:hover { background: #ecf4fb; }

    #toc .toc-folder > a::before {
      content: '';
      display: inline-block;
      width: 0; height: 0;
      border-top: 4px solid transparent;
      border-bottom: 4px solid transparent;
      border-left: 5px solid #93a3b8;
      margin-right: 6px;
      vertical-align: middle;
      transition: transform 0.2s ease;
    }
    #toc .toc-folder.expanded > a::before {
      transform: rotate(90deg);
      border-left-color: #0054a0;
    }

    #toc .toc-page > a::before {
      content: '';
      display: inline-block;
      width: 4px; height: 4px;
      border-radius: 50%;
      background: #93a3b8;
      margin-right: 8px;
      vertical-align: middle;
    }

    #toc .toc-folder > ul {
      margin-left: 9px;
      padding-left: 12px !important;
      border-left: 1px solid #e0f0fc;
    }

    #toc > li > a { font-weight: 500; font-size: 13.5px; }
    #toc .toc-active > a { background: #e0f0fc; font-weight: 600; }
  </style>
  <link type="text/css" href="custom.css" rel="stylesheet" />
  <script type="text/javascript" src="helpman_settings.js"></script>
  <script type="text/javascript">
    function toggleNode(li, expand) {
      var ul = li.querySelector(':scope > ul');
      if (!ul) return;
      ul.style.display = expand ? 'block' : 'none';
      if (expand) { li.classList.add('expanded'); } else { li.classList.remove('expanded'); }
    }

    function setAll(expand) {
      var folders = document.querySelectorAll('#toc .toc-folder');
      for (var i = 0; i < folders.length; i++) { toggleNode(folders[i], expand); }
    }

    function clicked(node, event) {
      event.stopPropagation();
      var ul = node.querySelector(':scope > ul');
      document.querySelectorAll('#toc .toc-active').forEach(function(el) { el.classList.remove('toc-active'); });
      node.classList.add('toc-active');
      if (ul) { toggleNode(node, ul.style.display === 'none'); }
      return true;
    }

    function dblclicked(node) {
      var li = node.closest('li');
      var ul = li.querySelector(':scope > ul');
      if (ul) { toggleNode(li, ul.style.display === 'none'); }
      return false;
    }

    document.addEventListener('DOMContentLoaded', function() {
      var state = (typeof initialtocstate !== 'undefined') ? initialtocstate : 'collapseall';
      setAll(state === 'expandall');
      try {
        var firstLink = document.querySelector('#toc a[href]');
        if (firstLink && window.parent && window.parent !== window) {
          window.parent.postMessage({type: 'tocFirstLink', href: firstLink.getAttribute('href')}, '*');
        }
      } catch (e) {}
    });
  </script>
</head>
<body>
"""
)

TOC_TAIL = "\n</body>\n</html>"
